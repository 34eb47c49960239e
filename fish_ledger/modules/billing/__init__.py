"""Bill arithmetic, validation, rate lookup and the sales / purchase bill services."""
