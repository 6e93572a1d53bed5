"""In-memory accumulation of DevTools events for one scan."""
