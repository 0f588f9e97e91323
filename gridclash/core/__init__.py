"""Framework pieces shared by every actor: data types, config, engine, events."""
