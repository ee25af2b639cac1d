from pathlib import Path

import pytest

from case_split.models import PositionedToken

FIXTURES = Path(__file__).parent / "fixtures"


@pytest.fixture()
def detail_line():
    """Build a quoted Record Type 2 line with 23 columns."""

    def _make(product, qty, net, hu, order="PO1"):
        fields = [
            "2", "C100", "D200", "INV900", order, product, qty, net, "0", "EUR",
            "Standard Order", "0", "0", "84212300", "TN", hu, "EAR99",
            "Not on Control List", "0", "PART " + product, "1.000", "0.600 KG", "",
        ]
        return ",".join(f'"{f}"' for f in fields)

    return _make


@pytest.fixture()
def header_line():
    return '"1","C100","D200","INV900","124.50","0","0","90.00","0","EUR","0","90.00","0","NL123","90.00","","","","","","","",""'


@pytest.fixture()
def sample_manifest(tmp_path):
    target = tmp_path / "INV900.TXT"
    target.write_bytes((FIXTURES / "sample_manifest.TXT").read_bytes())
    return target


@pytest.fixture()
def case_page():
    """One page of Case Details words as pdfplumber would position them."""

    def row(y, *words):
        tokens = []
        x = 40.0
        for word in words:
            tokens.append(PositionedToken(text=word, left=x, bottom=y))
            x += 12.0 + 6.0 * len(word)
        return tokens

    tokens = []
    tokens += row(780.0, "Packing", "List")
    tokens += row(740.0, "Case", "Details")
    tokens += row(720.0, "Handling", "Unit", "Delivery", "Item", "Description", "COO", "Qty")
    tokens += row(700.0, "4401762522", "100794958", "5589401", "OIL", "FILTER", "TN", "5")
    tokens += row(690.4, "4401762523", "100794958", "5589401", "OIL", "FILTER", "TN", "3")
    tokens += row(680.0, "4401762523", "100794958", "7700112", "AIR", "FILTER", "XL", "DE", "4")
    tokens += row(640.0, "General", "Summary")
    tokens += row(620.0, "4401769999", "100794958", "5589401", "OIL", "FILTER", "TN", "99")
    # arrive in stream order, not reading order
    return list(reversed(tokens))
