"""Runtime policy resolution."""
