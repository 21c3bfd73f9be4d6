"""Core primitives for recur: errors, logging, settings and scheduling."""
