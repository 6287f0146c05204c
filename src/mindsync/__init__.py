"""MindSync - balance coach with natural-language scheduling."""
