"""Provider adapters: fetch raw payloads and normalize them."""
