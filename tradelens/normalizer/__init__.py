"""Normalizers: raw rows and documents into typed TradeRecords."""
