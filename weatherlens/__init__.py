"""Weather lookup service: locations, current conditions, alerts and forecasts."""
