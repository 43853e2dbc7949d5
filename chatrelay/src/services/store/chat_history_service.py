"""Service for storing and retrieving chat messages using a JSON file.

This module persists every chat message to a single JSON array on disk and
returns them per session in conversation order. Concurrent access from request
threads is serialized with a lock; sessions need no separate locking because
they are independent key spaces inside the same append-only list.
"""

import json
import logging
import os
import threading
from dataclasses import replace
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Dict, List, Union

from chatrelay.conf.config import Config
from chatrelay.src.data_classes.chat_message import ChatMessage
from chatrelay.src.services.exceptions import StorageError

logger = logging.getLogger(__name__)

# Smallest step used to keep timestamps strictly increasing within a session
_TIMESTAMP_STEP = timedelta(microseconds=1)


class ChatHistoryService:
    """Append-only message store backed by a JSON file.

    Attributes:
        file_path (Path): Path to the JSON file storing the messages
        lock (threading.Lock): Lock for safe concurrent file access
    """

    def __init__(self, file_path: Union[str, Path, None] = None) -> None:
        """Initialize the JSON storage.

        Args:
            file_path: Where to keep the messages; defaults to Config.CHAT_HISTORY_PATH
        """
        self.file_path = Path(file_path or Config.CHAT_HISTORY_PATH)
        self.lock = threading.Lock()
        # Latest timestamp handed out per session, loaded lazily from disk
        self._last_timestamps: Dict[str, datetime] = {}
        self.initialize_storage()

    def initialize_storage(self) -> None:
        """Create the history file (and its directory) if it doesn't exist.

        Raises:
            StorageError: If the file cannot be created
        """
        try:
            if not self.file_path.exists():
                self.file_path.parent.mkdir(parents=True, exist_ok=True)
                with open(self.file_path, "w", encoding="utf-8") as f:
                    json.dump([], f)
                logger.info(f"Chat history file initialized at {self.file_path}")
        except OSError as e:
            logger.error(f"Error initializing chat history file: {str(e)}")
            raise StorageError(f"Cannot initialize chat history: {str(e)}") from e

        with self.lock:
            for record in self._read_records():
                message = ChatMessage.from_dict(record)
                self._track_timestamp(message)

    def save(self, message: ChatMessage) -> ChatMessage:
        """Append a message to the store.

        If the message's timestamp does not sort after the last message of its
        session, it is moved forward by the smallest step so that conversation
        order and timestamp order agree.

        Args:
            message: Message to persist

        Returns:
            The message as persisted

        Raises:
            StorageError: If the file cannot be read or written
        """
        with self.lock:
            last = self._last_timestamps.get(message.session_id)
            if last is not None and message.timestamp <= last:
                message = replace(message, timestamp=last + _TIMESTAMP_STEP)

            records = self._read_records()
            records.append(message.to_dict())
            self._write_records(records)
            self._track_timestamp(message)

            logger.debug(
                f"Stored {message.sender.value} message for session {message.session_id}. "
                f"Total entries: {len(records)}"
            )
            return message

    def list_by_session(self, session_id: str) -> List[ChatMessage]:
        """Retrieve the messages of one session in conversation order.

        Args:
            session_id: Conversation key

        Returns:
            Messages sorted by ascending timestamp; empty if the session is unknown

        Raises:
            StorageError: If the file cannot be read
        """
        with self.lock:
            records = self._read_records()

        messages = [
            ChatMessage.from_dict(record)
            for record in records
            if record.get("session_id") == session_id
        ]
        # Stable sort keeps insertion order for equal timestamps
        messages.sort(key=lambda m: m.timestamp)
        logger.debug(f"Returning {len(messages)} messages for session {session_id}")
        return messages

    def _track_timestamp(self, message: ChatMessage) -> None:
        last = self._last_timestamps.get(message.session_id)
        if last is None or message.timestamp > last:
            self._last_timestamps[message.session_id] = message.timestamp

    def _read_records(self) -> List[Dict[str, Any]]:
        try:
            if not self.file_path.exists() or os.path.getsize(self.file_path) == 0:
                return []
            with open(self.file_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Error reading chat history: {str(e)}")
            raise StorageError(f"Cannot read chat history: {str(e)}") from e

        if not isinstance(data, list):
            raise StorageError("Chat history file does not contain a JSON array")
        return data

    def _write_records(self, records: List[Dict[str, Any]]) -> None:
        # Write to a sibling file and swap it in so readers never see half a file
        tmp_path = self.file_path.with_suffix(self.file_path.suffix + ".tmp")
        try:
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(records, f, indent=2, ensure_ascii=False)
            os.replace(tmp_path, self.file_path)
        except OSError as e:
            logger.error(f"Error storing chat history: {str(e)}")
            raise StorageError(f"Cannot write chat history: {str(e)}") from e
