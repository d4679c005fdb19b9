"""Provision an Ubuntu web server (Nginx, Docker, Let's Encrypt) with Ansible."""

__version__ = "0.1.0"
