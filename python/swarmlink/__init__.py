"""swarmlink: route prompts between an agent HTTP service and tmux panes."""

__version__ = "0.3.0"
