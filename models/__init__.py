from .poll_model import Poll
from .poll_options_model import PollOptions
from .tag_model import PollTag
from .tag_map_model import PollTagMap
from .vote_model import Vote

__all__ = ['Poll', 'PollOptions', 'PollTag', 'PollTagMap', 'Vote']
