"""Ratings domain - Patient ratings and the doctor average they maintain"""
