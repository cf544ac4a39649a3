"""EventDesk: subscriptions and venue schedules for event ticketing."""
