"""Callers that fetch the raw reading snapshot."""
