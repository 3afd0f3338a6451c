"""herd/ -- Farms, livestock, sensor telemetry, anomalies, devices and notifications.

Layer rule: herd/ imports only stdlib + third-party libraries + core/.
It does NOT import from api/ or auth/.
"""
