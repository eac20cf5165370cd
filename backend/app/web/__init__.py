"""Server-rendered gallery pages."""
