"""Log in to a throwaway ECS Fargate task over SSH."""
