"""playbot — runs Go snippets posted in Slack through the Go Playground."""

__version__ = "0.1.0"
