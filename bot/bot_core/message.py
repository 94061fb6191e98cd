"""
Message — one fetched event, bound to the bot that received it.
"""


class Message:
    """Thin wrapper over the raw event dict. ``bot`` is set before dispatch."""

    def __init__(self, raw):
        self.raw = raw
        self.bot = None

    def init(self, bot):
        self.bot = bot
        return self

    @property
    def msg_id(self):
        return self.raw.get("MsgId", "")

    @property
    def msg_type(self):
        return self.raw.get("MsgType", 0)

    @property
    def from_user_name(self):
        return self.raw.get("FromUserName", "")

    @property
    def to_user_name(self):
        return self.raw.get("ToUserName", "")

    @property
    def content(self):
        return self.raw.get("Content", "")

    @property
    def create_time(self):
        return self.raw.get("CreateTime", 0)

    def is_send_by_self(self):
        if self.bot is None:
            return False
        user = self.bot.get_current_user()
        return self.from_user_name == user.get("UserName")

    def __repr__(self):
        return f"Message(id={self.msg_id!r}, type={self.msg_type!r}, from={self.from_user_name!r})"
