"""Configuration settings for Wayfinder."""

CONFIG = {
    "tick_interval": 1.0,  # seconds between tracking ticks
    "arrival_radius": 8,  # meters - straight-line distance that counts as arrived
    "final_approach_radius": 15,  # meters - switch to straight-line remaining distance
    "reroute_distance": 20,  # meters moved since last route fetch before rerouting
    "network_timeout": 10,  # seconds - upper bound on a snap or route request
    # GPS
    "gps_poll_interval": 1,  # seconds between termux-location reads
    "gps_fix_timeout": 30,  # seconds - termux-location subprocess timeout
    "gps_warmup_time": 20,  # seconds to wait for a first fix at startup
    # Sinks
    "haptic_max_distance": 30,  # meters - vibrate while remaining is inside this
    "haptic_amplitude": 0.4,
    "arrival_message": "Arrived near your destination",
    "speech_rate": 150,  # espeak/pyttsx3 words per minute
    "speech_timeout": 10,  # seconds - upper bound on one espeak call
    # Remote services
    "api_key_env": "GOOGLE_MAPS_API_KEY",
    "roads_url": "https://roads.googleapis.com/v1/snapToRoads",
    "directions_url": "https://maps.googleapis.com/maps/api/directions/json",
}
