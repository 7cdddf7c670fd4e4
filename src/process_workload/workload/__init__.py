"""Annualization of step durations into yearly workload figures."""
