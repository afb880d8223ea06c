"""Git publishing."""
