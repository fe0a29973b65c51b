"""JSON-schema contracts for every artifact the tool writes."""
