"""Core shared types, constants and Firestore helpers."""
