"""Request middleware: logging, timing, JWT resolution, project access, rate limits."""
