"""Automation for the Vault and Cloud DNS geo-routing labs."""
