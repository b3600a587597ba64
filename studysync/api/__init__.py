"""HTTP API for studysync."""
