"""Business domains: profiles, periods, sessions and ratings"""
