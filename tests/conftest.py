import pytest
from PIL import Image

STANDARD_HEADER = "name,level,traits,effect,attack,defense,subtype,condition,rarity,kind"

SAMPLE_CARDS = """\
name,level,traits,effect,attack,defense,subtype,condition,rarity,kind
Ember Wolf,2,Beast;Fire,"Strikes first, then retreats.",3,1,,,2,Unit
Tide Call,,,Return a unit to its owner's hand.,,,Instant,When an enemy attacks,1,Spell
Quiet Hour,,,Skip the next combat.,,,Ritual,,3,Spell
"""


@pytest.fixture
def write_csv(tmp_path):
    """Write a card table and return its path."""

    def _write(text: str, name: str = "cards.csv"):
        path = tmp_path / name
        path.write_text(text, encoding="utf-8")
        return path

    return _write


@pytest.fixture
def sample_csv(write_csv):
    return write_csv(SAMPLE_CARDS)


@pytest.fixture
def many_cards_csv(write_csv):
    """Ten unit cards, enough to spill onto a second 3x3 sheet."""
    rows = [STANDARD_HEADER]
    rows += [f"Card {i:02d},1,,Effect {i},{i},{i},,,1,Unit" for i in range(10)]
    return write_csv("\n".join(rows) + "\n")


@pytest.fixture
def make_png(tmp_path):
    """Write a solid-color PNG and return its path."""

    def _make(name: str, size=(40, 60), color=(200, 30, 30, 255), folder=None):
        folder = folder or tmp_path / "images"
        folder.mkdir(parents=True, exist_ok=True)
        path = folder / name
        with Image.new("RGBA", size, color) as img:
            img.save(path)
        return path

    return _make
