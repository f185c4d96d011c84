"""agentrelay - chat bridge to command-line AI agents."""
