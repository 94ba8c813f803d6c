"""Prompt templates for the agent loop and the financial search router."""
