"""Utils package initialization"""

# Import classes only when needed to avoid circular imports
# Use direct imports in your code: from utils.logger import get_logger
