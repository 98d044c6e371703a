"""Command line interface for ecs-fargate-login."""
