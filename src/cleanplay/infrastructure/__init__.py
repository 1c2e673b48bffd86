"""Infrastructure layer - adapters for Spotify, Telegram, lyrics, Redis and the database."""
