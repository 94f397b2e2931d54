"""Click command groups for the phasetrack CLI."""
