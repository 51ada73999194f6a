"""CSS styles for the TUI.

Hides layout and styling decisions from the application logic.
Uses Textual CSS features: nesting, pseudo-classes, variables.
"""

APP_CSS = """
/* ============================================
   Main Screen Layout - single column
   ============================================ */
Screen {
    layout: vertical;
    background: $background;
}

/* ============================================
   Chat History Panel
   ============================================ */
#chat-history {
    height: 1fr;
    background: $panel;
    border: round $primary 60%;
    border-title-color: $primary;
    border-title-style: bold;
    border-title-align: left;
    border-subtitle-color: $text-muted;
    border-subtitle-align: right;
    padding: 0 1;
    scrollbar-gutter: stable;

    &:focus-within {
        border: round $primary;
    }
}

/* ============================================
   Typing Line - reveal / waiting indicator
   ============================================ */
#typing-line {
    height: auto;
    max-height: 12;
    padding: 0 2;
    color: $secondary;
    display: none;

    &.-visible {
        display: block;
    }

    &.-retrying {
        color: $warning;
    }
}

/* ============================================
   Log Panel
   ============================================ */
#debug-panel {
    height: 10;
    background: $panel;
    border: round $accent 60%;
    border-title-color: $accent;
    border-subtitle-color: $text-muted;
    border-subtitle-align: right;
    padding: 0 1;
}

/* ============================================
   Input Bar
   ============================================ */
ChatInputBar {
    height: 5;
    padding: 0 1;
}

#chat-input {
    width: 1fr;
    height: 100%;
    border: tall $border;

    &:focus {
        border: tall $primary;
    }
}

#send-btn {
    width: auto;
    min-width: 8;
    height: 100%;
    margin-left: 1;
}

/* ============================================
   Chat Messages
   ============================================ */
.chat-message {
    height: auto;
    margin: 1 0 0 0;
    padding: 0 1;
}

.user-message {
    border-left: tall $primary;
    background: $primary 8%;

    & .message-header {
        color: $primary;
        text-style: bold;
    }
}

.assistant-message {
    border-left: tall $secondary;
    background: $secondary 8%;

    & .message-header {
        color: $secondary;
        text-style: bold;
    }
}

.system-message {
    border-left: tall $warning;
    background: $warning 8%;

    & .message-header {
        color: $warning;
        text-style: italic;
    }
}

.message-header {
    height: auto;
}

.message-content {
    height: auto;
}

.empty-state {
    width: 100%;
    height: auto;
    margin-top: 2;
    text-align: center;
    color: $text-muted;
}
"""
