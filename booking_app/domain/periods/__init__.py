"""Periods domain - Doctor availability slots and the interval rules that guard them"""
