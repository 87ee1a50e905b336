"""
Scheduling Domain

Appointment slot availability shown on the client booking page.
"""
