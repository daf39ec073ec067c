"""Build queue runner support code."""
