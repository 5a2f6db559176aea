"""
Core modules for GCP Cost Report.

This package contains the cost model, the free trial projection and
the report assembly that ties collectors to both.
"""
