"""Adapters connecting the perfkeeper core to external stores."""
