"""sshbuddy - aggregated SSH host inventory with reachability probing."""

__version__ = "0.1.0"
