"""FastAPI server exposing the governance node over HTTP."""
