"""Family Album: a private photo album for a family."""
