"""HRIS workflows — multi-tenant HR backend (leave, KPI, loans, documents, preboarding, training)."""
