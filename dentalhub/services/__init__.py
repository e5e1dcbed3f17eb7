"""Services for DentalHub"""
