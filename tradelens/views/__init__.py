"""One visualization per view kind, each owning its ViewState."""
