"""Formula-based energy expenditure and body composition helpers."""
