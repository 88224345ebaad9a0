from postwatch.ca_sniper.notifiers.webhook import WebhookNotifier

__all__ = ["WebhookNotifier"]
