"""
Mock integration clients.

These clients return fake (but realistic) Lipia responses without calling any external API.
They are used when:
- No LIPIA_API_KEY is configured
- We want to test the relay end-to-end without external dependencies

Important:
- Mock clients must follow the SAME interface as real HTTP clients.
- Mock clients should return data shaped according to src/integrations/contracts/*

Switching to real:
Set LIPIA_API_KEY (or INTEGRATIONS_MODE=real) and src/api/main.py selects
clients/real_http/* instead.
"""
