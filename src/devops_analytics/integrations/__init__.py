"""Platform integrations for DevOps Analytics."""
