"""Adapters around pbp_engine: roster spreadsheets and live game sessions."""
