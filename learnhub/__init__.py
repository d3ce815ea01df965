"""learnhub: course progress service and timed test session engine."""
