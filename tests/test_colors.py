import pytest

from gazer.tracking import IdentityColorAssigner, to_css
from gazer.tracking.colors import DEFAULT_PALETTE


def test_palette_color_is_idempotent():
    colors = IdentityColorAssigner(policy='palette')
    first = colors.color_for('person_1', 1)
    assert colors.color_for('person_1', 1) == first
    assert colors.color_for('person_1') == first


def test_palette_indexed_by_sequence():
    colors = IdentityColorAssigner(policy='palette')
    size = len(DEFAULT_PALETTE)
    assert colors.color_for('person_3', 3) == DEFAULT_PALETTE[3]
    assert colors.color_for(f'person_{size + 3}', size + 3) == DEFAULT_PALETTE[3]


def test_random_color_is_cached_and_in_range():
    colors = IdentityColorAssigner(policy='random', seed=7)
    first = colors.color_for('person_1')
    assert colors.color_for('person_1') == first
    assert all(50 <= channel < 255 for channel in first)


def test_random_seed_is_reproducible():
    a = IdentityColorAssigner(policy='random', seed=42)
    b = IdentityColorAssigner(policy='random', seed=42)
    assert [a.color_for(f'p{i}') for i in range(5)] == [b.color_for(f'p{i}') for i in range(5)]


def test_forget_drops_memo():
    colors = IdentityColorAssigner()
    colors.color_for('person_1', 1)
    assert 'person_1' in colors
    colors.forget('person_1')
    assert 'person_1' not in colors
    assert len(colors) == 0


def test_unknown_policy():
    with pytest.raises(ValueError):
        IdentityColorAssigner(policy='rainbow')


def test_to_css():
    assert to_css((10, 20, 30)) == 'rgba(10,20,30,0.9)'
    assert to_css(None) == 'none'
