"""Pure cost-tracking core: categories, filters, aggregation and reports."""
