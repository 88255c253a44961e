"""TR-069 / CWMP auto-configuration server."""
