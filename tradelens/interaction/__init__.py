"""Pointer interaction: tooltips, modals, drag and zoom routing."""
