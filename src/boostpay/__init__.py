"""boostpay — escrow and bounty settlement engine."""
