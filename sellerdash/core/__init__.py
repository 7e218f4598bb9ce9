"""Cross-cutting helpers (logging, security)."""
