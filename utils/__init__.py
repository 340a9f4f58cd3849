# Shared helpers for Mercato apps
