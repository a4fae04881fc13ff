"""Bookings app package.

This app is the booking engine itself: availability of resources, price
composition and the atomic commit of reservations. Overlapping requests
for the same resource are arbitrated by the database through a unique
constraint on reserved nights.
"""
