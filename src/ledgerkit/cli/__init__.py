"""CLI layer for ledgerkit application."""
