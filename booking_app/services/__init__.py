"""Background automation for session lifecycles"""
