"""Server internals: the ASGI handler, response sender, negotiation and terminal error handling."""
