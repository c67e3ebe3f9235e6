"""Weather dashboard with AI Q&A and per-user saved locations."""
