# Infrastructure layer - database, storage, external services
"""
Infrastructure layer contains:
- Database repositories
- Storage adapters
- External service clients

This layer depends on the domain layer, not vice versa.
"""
