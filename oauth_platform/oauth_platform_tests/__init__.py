"""
Tests for the oauth_platform services.

- `oauth_service`: registration, project-scoped login, rate limiting,
  profile changes
- `catalog_service`: product CRUD and queries, the rating aggregate and its
  routes
- `common`: error handlers, request logging and route spans, configuration
"""
