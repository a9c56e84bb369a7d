"""vpsdeploy CLI commands"""
