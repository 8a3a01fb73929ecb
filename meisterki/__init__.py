"""MeisterKI — offer calculation backend for craft businesses."""
