"""Document model, rule model and drawing helpers."""
