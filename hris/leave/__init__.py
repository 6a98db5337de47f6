"""Leave module — leave types, applications, and the team calendar."""
