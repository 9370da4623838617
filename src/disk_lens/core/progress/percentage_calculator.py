"""Progress percentage calculation implementation."""

from __future__ import annotations


class ProgressPercentageCalculator:
    """Calculator for progress percentages with configurable precision and ceiling."""

    precision: int
    ceiling: float

    def __init__(self, precision: int = 2, ceiling: float = 100.0) -> None:
        """Initialize the progress percentage calculator.

        Args:
            precision: Number of decimal places to round the result to (default: 2)
            ceiling: Largest value the calculator will report (default: 100.0)
        """
        if precision < 0:
            raise ValueError("Precision must be a non-negative integer")
        if not 0.0 <= ceiling <= 100.0:
            raise ValueError("Ceiling must be between 0 and 100")

        self.precision = precision
        self.ceiling = ceiling

    def calculate_percentage(self, processed: int, total: int) -> float:
        """Calculate the percentage of items processed.

        Args:
            processed: Items processed so far
            total: Current estimate of the total item count

        Returns:
            ``min(ceiling, processed / total * 100)`` rounded to ``precision``;
            0.0 while the total is still unknown (zero)

        Raises:
            ValueError: If processed or total are negative
        """
        if processed < 0:
            raise ValueError("Processed count cannot be negative")
        if total < 0:
            raise ValueError("Total cannot be negative")
        if total == 0:
            return 0.0

        percentage = processed / total * 100.0
        percentage = float(round(percentage)) if self.precision == 0 else round(percentage, self.precision)

        # Cap after rounding
        return min(percentage, self.ceiling)
