"""
Contracts (data models).

This folder defines the request/response shapes for the provider integration:
- STK push request/result
- Status query result
- Callback event

Why this exists:
- Ensures consistent data structures across mock and real clients
- Prevents “guessing” payload formats in multiple places
- The reconciler relies on stable models, not on ad-hoc dicts

Both mock and real HTTP clients should use these contracts.
"""
