"""Study AI Vault: REST backend for sharing and discussing study PDFs."""
