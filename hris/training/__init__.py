"""Training module — sessions, enrollments, and the FIFO waitlist."""
