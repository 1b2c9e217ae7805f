"""FAQ corpus: model, loading and endpoints."""
