"""roadwise -- live city signals synthesized into structured travel advice."""

__version__ = "0.1.0"
