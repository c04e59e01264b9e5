"""
Módulo de Inferencia de IA para detección de personas.
Wrapper de RF-DETR con soporte GPU.
"""

from .detector import PersonDetector

__all__ = ['PersonDetector']
