"""Infrastructure: configuration, helper processes, logging, wiring."""
