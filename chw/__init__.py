"""Container Health Watchdog (CHW).

Small self-healing watchdog that:
 - probes one HTTP(S) health endpoint on a fixed interval
 - counts consecutive failures
 - restarts a configured list of Docker containers once the failure
   threshold is reached, one container at a time

Everything runs on a single sequential loop so the decision logic stays
easy to follow.
"""
