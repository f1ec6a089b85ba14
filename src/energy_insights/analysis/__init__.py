"""Period-scoped analysis of normalized readings."""
