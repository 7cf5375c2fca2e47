"""
Core submission logic.

This package is framework-agnostic: it doesn't import FastAPI or any
storage SDK. Remote stores are reached through the protocols defined in
`uploads.orchestrator`.
"""
