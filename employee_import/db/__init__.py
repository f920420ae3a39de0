"""Record store access: connection management, ORM models, repositories."""
