"""
oauth_platform package

- `oauth_service`: OAuth V4 user accounts (registration, project-scoped login,
  profile changes)
- `catalog_service`: product catalog with embedded ratings and reviews
- `common`: configuration, error handling, logging and tracing shared by both
"""
