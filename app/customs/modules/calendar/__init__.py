"""Calendar of deadlines, inspections and deliveries."""
