"""Chat log persistence and the non-streaming chat-bot endpoint."""
