"""
Real HTTP integration clients.

These clients communicate with the Lipia payments API over HTTP:
- STK push initiation
- payment status queries

Important:
- Must implement the same interface as the mock clients
- Must return data shaped according to src/integrations/contracts/*

Switching:
The selection of mock vs real clients happens in src/api/main.py only.
"""
