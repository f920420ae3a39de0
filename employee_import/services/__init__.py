"""
Services
========

Import pipeline services: normalization, AI extraction, signed uploads,
the job ledger, auth, and the bulk CSV flow.
"""
