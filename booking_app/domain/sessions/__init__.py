"""Sessions domain - Booking, cancellation and refund events"""
