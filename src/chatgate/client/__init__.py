"""Client side of chatgate: session context, HTTP client, CLI support."""
