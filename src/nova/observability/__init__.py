"""Observability passes — latency budgets, property checks, and the
optimization advisor. None of them can alter or abort a response.
"""
