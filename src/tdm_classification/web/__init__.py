"""HTTP interface for the TDM classification service."""
