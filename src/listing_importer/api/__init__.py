"""HTTP surface: worker endpoint, stats, status polling, health, metrics."""
