"""agentscope: activity analytics for OpenClaw agent session logs."""

__version__ = "0.1.0"
