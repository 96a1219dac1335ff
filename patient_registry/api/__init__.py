"""HTTP routes for the patient registry."""
