"""Unit tests for title normalization"""

import sys
from pathlib import Path
backend_src = Path(__file__).parent.parent.parent.parent / "src"
sys.path.insert(0, str(backend_src))

from domain.extraction.title_normalizer import normalize_title


class TestNormalizeTitle:

    def test_lowercases_and_collapses_whitespace(self):
        result = normalize_title("  Charizard   EX\t006/197  ")
        assert result.cleaned == "charizard ex 006/197"
        assert result.original == "  Charizard   EX\t006/197  "

    def test_strips_emoji(self):
        result = normalize_title("🔥 Charizard ex 🔥 006/197 ✨")
        assert result.cleaned == "charizard ex 006/197"

    def test_decodes_html_entities(self):
        result = normalize_title("Pikachu &amp; Zekrom GX &quot;Tag Team&quot;")
        assert result.cleaned == 'pikachu & zekrom gx "tag team"'

    def test_apostrophe_entity(self):
        assert normalize_title("Misty&#39;s Psyduck").cleaned == "misty's psyduck"

    def test_is_idempotent(self):
        once = normalize_title("Umbreon VMAX 215/203 Alt Art").cleaned
        assert normalize_title(once).cleaned == once
