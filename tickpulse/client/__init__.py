from tickpulse.client.feed_client import START_SIMULATION, STOP_SIMULATION, FeedClient

__all__ = ["FeedClient", "START_SIMULATION", "STOP_SIMULATION"]
