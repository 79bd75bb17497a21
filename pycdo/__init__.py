"""pycdo: cellwise source terms for CDO vertex-based schemes on polyhedral meshes."""
__version__ = "0.1.0"
