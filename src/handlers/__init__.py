"""HTTP handlers for the Complaint Tracker API."""
