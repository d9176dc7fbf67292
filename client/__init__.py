"""Interactive key tool for the ECC toolkit."""
