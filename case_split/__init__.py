"""Split supplier manifests per handling unit using the invoice's Case Details."""

__all__ = [
    "config",
    "models",
    "numeral",
    "layout",
    "reader",
    "extractor",
    "inventory",
    "manifest",
    "allocation",
    "verifier",
    "pipeline",
    "cli",
]
