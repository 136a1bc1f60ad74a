"""
API Layer

RESPONSIBILITY: HTTP transport and DTO mapping
ALLOWED INPUTS: JSON requests
OUTPUTS: Exported graphs as JSON, structural metrics

WHAT THIS LAYER MUST NOT DO:
============================
- Run inference itself (it calls ArgumentationBackend)
- Keep a program in module globals (it lives on app.state)
"""
