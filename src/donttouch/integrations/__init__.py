"""Git hook and AI agent file integrations."""
