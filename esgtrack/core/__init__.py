"""Core utilities shared across ESGTrack."""
