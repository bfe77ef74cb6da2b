"""Core host aggregation and session handling for sshbuddy."""
