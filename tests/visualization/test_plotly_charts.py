import plotly.graph_objects as go

from proud_profits.visualization.plotly_charts import create_empty_figure, create_signal_figure


def test_signal_figure_traces(sample_candles, sample_signals, sample_price):
    fig = create_signal_figure(sample_candles, sample_signals, live_price=sample_price.price,
                               title='BTCUSDT')
    assert isinstance(fig, go.Figure)

    names = [trace.name for trace in fig.data]
    assert names == ['Price', 'Buy', 'Sell']
    assert len(fig.data[0].x) == 52

    buy = fig.data[1]
    assert buy.marker.symbol == 'triangle-up'
    assert list(buy.y) == [sample_signals[0].price]

    # Live price line
    assert len(fig.layout.shapes) == 1
    assert fig.layout.shapes[0].y0 == sample_price.price


def test_signal_figure_skips_live_line_off_scale(sample_candles):
    fig = create_signal_figure(sample_candles, live_price=1.0)
    assert len(fig.layout.shapes) == 0
    assert [trace.name for trace in fig.data] == ['Price']


def test_signal_figure_without_candles():
    fig = create_signal_figure([])
    assert len(fig.data) == 0
    assert fig.layout.annotations[0].text == "No chart data available"


def test_empty_figure_message():
    fig = create_empty_figure("Nothing here")
    assert fig.layout.annotations[0].text == "Nothing here"
