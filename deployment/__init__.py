"""HTTP deployment of the chunking service."""
