"""
Role portals: login entry points, guarded dashboards and the route guard.
"""
