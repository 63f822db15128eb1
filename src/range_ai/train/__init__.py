"""Trainer, replay, rewards and training ranges."""
