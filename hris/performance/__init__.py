"""Performance module — cycle participants and KPI assignments."""
