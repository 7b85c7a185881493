# Fleetsheet API package
