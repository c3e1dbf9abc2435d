"""HTTP interface for ESGTrack."""
