"""
Gazer Tracking Pipeline
Seguimiento de personas y selección del objetivo de mirada para un ojo animado.
"""

__version__ = '1.0.0'
