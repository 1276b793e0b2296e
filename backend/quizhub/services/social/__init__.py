"""Social features: friendships, private leaderboards and notifications."""
