"""Chembys order list → courier (DTDC / Delhivery) sync automation."""
