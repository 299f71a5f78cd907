"""HTTP interface of the spa booking engine."""
