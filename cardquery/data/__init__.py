"""Static card dataset and its loader."""
