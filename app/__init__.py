"""KidWatch: backend de monitoramento pai/filho (sessões, privacidade, activity log)."""
