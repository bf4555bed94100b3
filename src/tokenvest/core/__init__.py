"""
Core building blocks: checked arithmetic, addresses, errors, configuration,
logging, persistence and the contract collaborators.
"""
