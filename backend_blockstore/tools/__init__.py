"""Command-line tools: process one block update, or run a stream of them."""
