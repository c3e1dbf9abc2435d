"""ESGTrack: versioned ESG metric records per company."""

__version__ = "0.1.0"
