"""Static catalogs: plans, rate limits, scopes and action costs."""
