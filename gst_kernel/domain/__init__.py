"""Pure domain value objects for the GST kernel."""
