"""Word-addressed main memory."""
