"""
Services module for business logic separation.

- registry: short code allocation, display names, expiry sweep
- creation: submission classification and link creation
- resolution: code lookup and response selection
- scan_recorder: background visit logging
"""
